import pytest

from dknet.cfgparser import (
    LayerType,
    Section,
    is_network,
    layer_type_from_section,
    parse_data,
    parse_float_list,
    parse_yolo_mask,
    read_cfg,
)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("[conv]", LayerType.CONVOLUTIONAL),
        ("[convolutional]", LayerType.CONVOLUTIONAL),
        ("[max]", LayerType.MAXPOOL),
        ("[lrn]", LayerType.NORMALIZATION),
        ("[yolo]", LayerType.YOLO),
        ("[net]", LayerType.NETWORK),
        ("[upsample]", LayerType.UPSAMPLE),
        ("[unknown]", LayerType.BLANK),
    ],
)
def test_layer_type_from_section(name, expected):
    assert layer_type_from_section(name) is expected


CFG = """[net]
# training
batch=64
width = 416

[convolutional]
filters=32
size=3

[maxpool]
size=2
"""


def test_read_cfg_sections(tmp_path):
    path = tmp_path / "net.cfg"
    path.write_text(CFG)
    sections = read_cfg(path)
    assert [s.name for s in sections] == ["[net]", "[convolutional]", "[maxpool]"]
    assert is_network(sections[0])
    assert not is_network(sections[1])
    assert sections[0].options.find_int("width", 0) == 416
    assert sections[1].options.find_int("filters", 1) == 32
    assert sections[2].layer_type is LayerType.MAXPOOL


def test_read_cfg_option_before_section(tmp_path):
    path = tmp_path / "bad.cfg"
    path.write_text("batch=1\n[net]\n")
    with pytest.raises(ValueError):
        read_cfg(path)


def test_read_cfg_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_cfg(tmp_path / "none.cfg")


def test_is_network_accepts_both_names():
    assert is_network(Section("[network]"))
    assert not is_network(Section("[route]"))


def test_parse_data_limits_count():
    assert parse_data("1,2.5,3", 2) == [1.0, 2.5]


def test_parse_data_fewer_values_than_requested():
    assert parse_data("1,2", 5) == [1.0, 2.0]


def test_parse_data_none():
    assert parse_data(None, 3) == []


def test_parse_yolo_mask():
    assert parse_yolo_mask("0,1,2") == [0, 1, 2]
    assert parse_yolo_mask(None) is None


def test_parse_float_list():
    assert parse_float_list("10,13, 16") == [10.0, 13.0, 16.0]
    assert parse_float_list(None) is None


def test_parse_float_list_length_matches_commas():
    text = "1.5,2,3.25,4"
    assert len(parse_float_list(text)) == text.count(",") + 1