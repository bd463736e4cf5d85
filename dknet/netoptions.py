"""Network-wide training options read from the ``[net]`` section."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Optional

from .cfgparser import parse_float_list
from .options import OptionList, _leading_int


class Policy(enum.Enum):
    """Learning rate schedules."""

    CONSTANT = enum.auto()
    STEP = enum.auto()
    POLY = enum.auto()
    STEPS = enum.auto()
    SIG = enum.auto()
    RANDOM = enum.auto()
    EXP = enum.auto()


_POLICIES = {
    "random": Policy.RANDOM,
    "poly": Policy.POLY,
    "constant": Policy.CONSTANT,
    "step": Policy.STEP,
    "exp": Policy.EXP,
    "sigmoid": Policy.SIG,
    "steps": Policy.STEPS,
}


def get_policy(name: str) -> Policy:
    """Return the policy called ``name``, falling back to constant."""
    policy = _POLICIES.get(name)
    if policy is None:
        print(f"Couldn't find policy {name}, going with constant")
        return Policy.CONSTANT
    return policy


@dataclass
class NetOptions:
    """Settings that apply to the whole network."""

    batch: int = 0
    learning_rate: float = 0.0
    momentum: float = 0.0
    decay: float = 0.0
    subdivisions: int = 0
    time_steps: int = 0
    notruth: int = 0
    random: int = 0
    quant_start_step: int = 0
    input_calibration: Optional[list[float]] = None
    adam: int = 0
    b1: float = 0.0
    b2: float = 0.0
    eps: float = 0.0
    h: int = 0
    w: int = 0
    c: int = 0
    inputs: int = 0
    max_crop: int = 0
    min_crop: int = 0
    max_ratio: float = 0.0
    min_ratio: float = 0.0
    center: int = 0
    clip: float = 0.0
    angle: float = 0.0
    aspect: float = 0.0
    saturation: float = 0.0
    exposure: float = 0.0
    hue: float = 0.0
    policy: Policy = Policy.CONSTANT
    burn_in: int = 0
    power: float = 0.0
    step: int = 0
    scale: float = 0.0
    steps: Optional[list[int]] = None
    scales: Optional[list[float]] = None
    gamma: float = 0.0
    max_batches: int = 0


def _trunc_div(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


def _float_ratio(a: int, b: int) -> float:
    """Floating division that yields inf or nan instead of raising on zero."""
    if b:
        return a / b
    if a == 0:
        return math.nan
    return math.copysign(math.inf, a)


def parse_net_options(options: OptionList) -> NetOptions:
    """Build the network settings from the options of a ``[net]`` section."""
    net = NetOptions()
    net.batch = options.find_int("batch", 1)
    net.learning_rate = options.find_float("learning_rate", 0.001)
    net.momentum = options.find_float("momentum", 0.9)
    net.decay = options.find_float("decay", 0.0001)
    subdivs = options.find_int("subdivisions", 1)
    net.time_steps = options.find_int_quiet("time_steps", 1)
    net.notruth = options.find_int_quiet("notruth", 0)
    if subdivs == 0:
        raise ValueError("subdivisions must not be zero")
    net.batch = _trunc_div(net.batch, subdivs) * net.time_steps
    net.subdivisions = subdivs
    net.random = options.find_int_quiet("random", 0)
    net.quant_start_step = options.find_int_quiet("start_quantization_step", 0)
    net.input_calibration = parse_float_list(options.find_str("input_calibration", None))

    net.adam = options.find_int_quiet("adam", 0)
    if net.adam:
        net.b1 = options.find_float("B1", 0.9)
        net.b2 = options.find_float("B2", 0.999)
        net.eps = options.find_float("eps", 0.0000001)

    net.h = options.find_int_quiet("height", 0)
    net.w = options.find_int_quiet("width", 0)
    net.c = options.find_int_quiet("channels", 0)
    net.inputs = options.find_int_quiet("inputs", net.h * net.w * net.c)
    net.max_crop = options.find_int_quiet("max_crop", net.w * 2)
    net.min_crop = options.find_int_quiet("min_crop", net.w)
    net.max_ratio = options.find_float_quiet("max_ratio", _float_ratio(net.max_crop, net.w))
    net.min_ratio = options.find_float_quiet("min_ratio", _float_ratio(net.min_crop, net.w))
    net.center = options.find_int_quiet("center", 0)
    net.clip = options.find_float_quiet("clip", 0)

    net.angle = options.find_float_quiet("angle", 0)
    net.aspect = options.find_float_quiet("aspect", 1)
    net.saturation = options.find_float_quiet("saturation", 1)
    net.exposure = options.find_float_quiet("exposure", 1)
    net.hue = options.find_float_quiet("hue", 0)

    if not net.inputs and not (net.h and net.w and net.c):
        raise ValueError("No input parameters supplied")

    net.policy = get_policy(options.find_str("policy", "constant"))
    net.burn_in = options.find_int_quiet("burn_in", 0)
    net.power = options.find_float_quiet("power", 4)

    if net.policy is Policy.STEP:
        net.step = options.find_int("step", 1)
        net.scale = options.find_float("scale", 1)
    elif net.policy is Policy.STEPS:
        steps_text = options.find("steps")
        scales_text = options.find("scales")
        if not steps_text or not scales_text:
            raise ValueError("STEPS policy must have steps and scales in cfg file")
        steps = [_leading_int(part) for part in steps_text.split(",")]
        scales = parse_float_list(scales_text) or []
        if len(scales) < len(steps):
            raise ValueError("STEPS policy needs a scale for every step")
        net.steps = steps
        net.scales = scales[: len(steps)]
    elif net.policy is Policy.EXP:
        net.gamma = options.find_float("gamma", 1)
    elif net.policy is Policy.SIG:
        net.gamma = options.find_float("gamma", 1)
        net.step = options.find_int("step", 1)

    net.max_batches = options.find_int("max_batches", 0)
    return net