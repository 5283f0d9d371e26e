import pytest

from tallyctl.parser import DEFAULT_PATH, DEFAULT_PORT, ParseError, parse_address, parse_data_file, parse_reading_lines


@pytest.mark.ut
def test_reading_lines_split_on_first_colon():
    reading = parse_reading_lines([
        "id: IDS60901\n",
        "name: Adelaide (West Terrace / ngayirdapira)\n",
        "local_date_time: 15/04:00pm\n",
        "\n",
        "garbage without separator\n",
    ])
    assert reading == {
        "id": "IDS60901",
        "name": "Adelaide (West Terrace / ngayirdapira)",
        "local_date_time": "15/04:00pm",
    }


@pytest.mark.ut
def test_reading_lines_later_duplicate_wins():
    assert parse_reading_lines(["id: S1", "temp: 10", "temp: 12"]) == {"id": "S1", "temp": "12"}


@pytest.mark.ut
@pytest.mark.parametrize("lines", [[], ["temp: 25"], ["id:   "]])
def test_reading_lines_require_identity(lines):
    with pytest.raises(ParseError):
        parse_reading_lines(lines)


@pytest.mark.ut
def test_parse_data_file(tmp_path):
    path = tmp_path / "station.txt"
    path.write_text("id: S1\nair_temp: 13.3\n", encoding="utf-8")
    assert parse_data_file(path) == {"id": "S1", "air_temp": "13.3"}


@pytest.mark.ut
def test_parse_missing_data_file(tmp_path):
    with pytest.raises(ParseError):
        parse_data_file(tmp_path / "absent.txt")


@pytest.mark.ut
@pytest.mark.parametrize("raw, expected", [
    ("localhost:4567", ("localhost", 4567, DEFAULT_PATH)),
    ("http://localhost:4567", ("localhost", 4567, DEFAULT_PATH)),
    ("http://example.org:8080/readings.json", ("example.org", 8080, "/readings.json")),
    ("example.org", ("example.org", DEFAULT_PORT, DEFAULT_PATH)),
])
def test_parse_address(raw, expected):
    assert parse_address(raw) == expected


@pytest.mark.ut
@pytest.mark.parametrize("raw", ["localhost:notaport", "http://:4567", "localhost:99999"])
def test_parse_invalid_address(raw):
    with pytest.raises(ParseError):
        parse_address(raw)
