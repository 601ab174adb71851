import pandas as pd
import pytest

from campaign_importer.errors import MalformedCsvError, UnsupportedFileTypeError
from campaign_importer.ingestion.loaders import load_table, read_csv_text


@pytest.fixture()
def hybrid_dataframe():
    return pd.DataFrame(
        [
            ["Ada Lovelace", "https://linkedin.com/in/ada", "Sim", "05/01/2025", "Sim", "06/01/2025"],
            ["Grace Hopper", "https://linkedin.com/in/grace", "Não", "", "", ""],
        ],
        columns=["Nome", "LinkedIn", "Invite", "Data de envio", "Aceito", "Data de aceite"],
    )


def test_read_csv_text_keeps_duplicate_headers_verbatim():
    table = read_csv_text("Nome,Data de envio,Data de envio\nAda,01/01/2025,02/01/2025\n", file_name="x.csv")

    assert table.headers == ["Nome", "Data de envio", "Data de envio"]
    assert table.rows == [["Ada", "01/01/2025", "02/01/2025"]]
    assert table.file_name == "x.csv"


def test_read_csv_text_strips_bom_and_honours_quoting():
    text = '\ufeffNome,Comentários\n"Lovelace, Ada","disse ""sim"""\n'

    table = read_csv_text(text)

    assert table.headers == ["Nome", "Comentários"]
    assert table.rows[0] == ["Lovelace, Ada", 'disse "sim"']


def test_read_csv_text_sniffs_semicolons_and_drops_blank_rows():
    table = read_csv_text("Nome;Campanha\nAda;C1\n;\n\nGrace;C2\n")

    assert table.headers == ["Nome", "Campanha"]
    assert table.rows == [["Ada", "C1"], ["Grace", "C2"]]


def test_read_csv_text_rejects_empty_input():
    with pytest.raises(MalformedCsvError) as excinfo:
        read_csv_text("  \n", file_name="empty.csv")

    assert excinfo.value.file_name == "empty.csv"
    assert "empty.csv" in str(excinfo.value)


def test_read_csv_text_rejects_ragged_rows():
    with pytest.raises(MalformedCsvError):
        read_csv_text("a,b\n1,2,3,4\n", file_name="ragged.csv")


def test_fingerprint_changes_with_content():
    first = read_csv_text("a,b\n1,2\n")
    same = read_csv_text("a,b\n1,2\n")
    other = read_csv_text("a,b\n1,3\n")

    assert first.fingerprint() == same.fingerprint()
    assert first.fingerprint() != other.fingerprint()


def test_load_table_from_csv(hybrid_dataframe, tmp_path):
    csv_path = tmp_path / "hybrid.csv"
    hybrid_dataframe.to_csv(csv_path, index=False)

    table = load_table(csv_path)

    assert table.file_name == "hybrid.csv"
    assert table.headers[-1] == "Data de aceite"
    assert table.rows[0][3] == "05/01/2025"
    assert table.rows[1][2] == "Não"


def test_load_table_from_excel(hybrid_dataframe, tmp_path):
    excel_path = tmp_path / "hybrid.xlsx"
    hybrid_dataframe.to_excel(excel_path, index=False)

    table = load_table(excel_path)

    assert table.headers[:3] == ["Nome", "LinkedIn", "Invite"]
    assert table.rows[0][0] == "Ada Lovelace"
    assert table.rows[1][3] == ""


def test_unsupported_file_extension(tmp_path):
    bad_path = tmp_path / "leads.json"
    bad_path.write_text("{}", encoding="utf-8")

    with pytest.raises(UnsupportedFileTypeError):
        load_table(bad_path)
