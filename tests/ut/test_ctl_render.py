import json

import pytest

from tally.core.model.message import Response
from tallyctl.commands import render


@pytest.mark.ut
def test_render_readings_as_key_value_blocks():
    body = json.dumps([{"id": "S1", "temp": "25"}, {"id": "S2", "temp": "19"}]).encode()
    response = Response(status=200, clock=4, body=body, headers={"content-type": "application/json"})

    assert render(response) == "200 OK\nid: S1\ntemp: 25\n\nid: S2\ntemp: 19"


@pytest.mark.ut
def test_render_text_body():
    response = Response.text(404, 1, "No readings available.")
    assert render(response) == "404 Not Found\nNo readings available."


@pytest.mark.ut
def test_render_empty_body():
    assert render(Response(status=201, clock=1)) == "201 Created"


@pytest.mark.ut
def test_render_invalid_json_falls_back_to_raw_body():
    response = Response(status=200, clock=1, body=b"[oops", headers={"content-type": "application/json"})
    assert render(response) == "200 OK\n[oops"
