import base64

import pytest

from conftest import make_data_uri
from thumbnail_studio.services.data_uri import is_data_uri, load_image, parse_data_uri
from thumbnail_studio.services.errors import InvalidImageData


def test_parse_strips_prefix_before_decoding():
    uri = "data:image/png;base64," + base64.b64encode(b"\x89PNG fake").decode()
    mime, raw = parse_data_uri(uri)

    assert mime == "image/png"
    assert raw == b"\x89PNG fake"


def test_load_image_round_trips_pillow_image():
    image = load_image(make_data_uri(64, 32))
    assert image.size == (64, 32)


@pytest.mark.parametrize(
    "value",
    [
        "https://example.com/image.png",
        "data:text/plain;base64,aGVsbG8=",
        "data:image/png;base64,!!!not-base64!!!",
        "",
    ],
)
def test_malformed_payloads_raise_invalid_image_data(value):
    with pytest.raises(InvalidImageData):
        load_image(value)


def test_non_image_bytes_raise_invalid_image_data():
    uri = "data:image/png;base64," + base64.b64encode(b"hello").decode()
    with pytest.raises(InvalidImageData):
        load_image(uri)


def test_is_data_uri():
    assert is_data_uri("data:image/webp;base64,AAAA")
    assert not is_data_uri("https://example.com/a.webp")
    assert not is_data_uri(None)
