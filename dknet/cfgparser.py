"""Reading of sectioned network configuration files."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .options import OptionList, _leading_float, _leading_int, _strip, read_option


class LayerType(enum.Enum):
    CONVOLUTIONAL = enum.auto()
    DECONVOLUTIONAL = enum.auto()
    CONNECTED = enum.auto()
    MAXPOOL = enum.auto()
    SOFTMAX = enum.auto()
    DETECTION = enum.auto()
    DROPOUT = enum.auto()
    CROP = enum.auto()
    ROUTE = enum.auto()
    COST = enum.auto()
    NORMALIZATION = enum.auto()
    AVGPOOL = enum.auto()
    LOCAL = enum.auto()
    SHORTCUT = enum.auto()
    ACTIVE = enum.auto()
    RNN = enum.auto()
    GRU = enum.auto()
    LSTM = enum.auto()
    CRNN = enum.auto()
    BATCHNORM = enum.auto()
    NETWORK = enum.auto()
    XNOR = enum.auto()
    REGION = enum.auto()
    YOLO = enum.auto()
    ISEG = enum.auto()
    REORG = enum.auto()
    UPSAMPLE = enum.auto()
    LOGXENT = enum.auto()
    L2NORM = enum.auto()
    BLANK = enum.auto()


_SECTION_TYPES = {
    "[shortcut]": LayerType.SHORTCUT,
    "[crop]": LayerType.CROP,
    "[cost]": LayerType.COST,
    "[detection]": LayerType.DETECTION,
    "[region]": LayerType.REGION,
    "[yolo]": LayerType.YOLO,
    "[iseg]": LayerType.ISEG,
    "[local]": LayerType.LOCAL,
    "[conv]": LayerType.CONVOLUTIONAL,
    "[convolutional]": LayerType.CONVOLUTIONAL,
    "[deconv]": LayerType.DECONVOLUTIONAL,
    "[deconvolutional]": LayerType.DECONVOLUTIONAL,
    "[activation]": LayerType.ACTIVE,
    "[logistic]": LayerType.LOGXENT,
    "[l2norm]": LayerType.L2NORM,
    "[net]": LayerType.NETWORK,
    "[network]": LayerType.NETWORK,
    "[conn]": LayerType.CONNECTED,
    "[connected]": LayerType.CONNECTED,
    "[max]": LayerType.MAXPOOL,
    "[maxpool]": LayerType.MAXPOOL,
    "[reorg]": LayerType.REORG,
    "[avg]": LayerType.AVGPOOL,
    "[avgpool]": LayerType.AVGPOOL,
    "[dropout]": LayerType.DROPOUT,
    "[lrn]": LayerType.NORMALIZATION,
    "[normalization]": LayerType.NORMALIZATION,
    "[batchnorm]": LayerType.BATCHNORM,
    "[soft]": LayerType.SOFTMAX,
    "[softmax]": LayerType.SOFTMAX,
    "[route]": LayerType.ROUTE,
    "[upsample]": LayerType.UPSAMPLE,
}


def layer_type_from_section(name: str) -> LayerType:
    """Map a section header such as ``[conv]`` to its layer type."""
    return _SECTION_TYPES.get(name, LayerType.BLANK)


@dataclass
class Section:
    """One ``[name]`` block of a configuration file and its options."""

    name: str
    options: OptionList = field(default_factory=OptionList)

    @property
    def layer_type(self) -> LayerType:
        return layer_type_from_section(self.name)


def read_cfg(path: Union[str, Path]) -> list[Section]:
    """Read a configuration file into its sections, in file order."""
    sections: list[Section] = []
    with open(path, "r") as handle:
        for number, raw in enumerate(handle, start=1):
            line = _strip(raw)
            if not line or line[0] in "#;":
                continue
            if line[0] == "[":
                sections.append(Section(line))
                continue
            if not sections:
                raise ValueError(f"line {number}: option before any section: {line}")
            if not read_option(line, sections[-1].options):
                print(f"Config file error line {number}, could parse: {line}")
    return sections


def is_network(section: Section) -> bool:
    return section.name in ("[net]", "[network]")


def parse_data(text: Optional[str], n: int) -> list[float]:
    """Parse at most ``n`` comma separated floats from ``text``."""
    if text is None:
        return []
    values: list[float] = []
    pos = 0
    search_from = 1
    while len(values) < n:
        end = text.find(",", search_from)
        token = text[pos:] if end < 0 else text[pos:end]
        match = _strip_number(token)
        values.append(match)
        if end < 0:
            break
        pos = end + 1
        search_from = pos
    return values


def _strip_number(token: str) -> float:
    return _leading_float(token)


def parse_yolo_mask(text: Optional[str]) -> Optional[list[int]]:
    """Parse a comma separated list of anchor indexes."""
    if text is None:
        return None
    return [_leading_int(part) for part in text.split(",")]


def parse_float_list(text: Optional[str]) -> Optional[list[float]]:
    """Parse a comma separated list of floats, such as anchors."""
    if text is None:
        return None
    return [_leading_float(part) for part in text.split(",")]