# dknet

`dknet` is a library of building blocks for a small convolutional network toolkit. It reads configuration files, reads and writes binary weight files, handles images stored as planar float arrays, and provides a max pooling layer and a local response normalization layer on numpy buffers.

## Modules

- `dknet.options` provides `OptionList`, an ordered list of `key=value` options. `find` returns the first match and marks that option as used. `find_str`, `find_int` and `find_float` return a default when the key is missing and print a "Using default" line. The `*_quiet` variants return the default without printing. `unused` prints and returns the options that were never looked up. `read_data_cfg(path)` reads a flat data file. It strips all whitespace and skips blank lines and lines that start with `#` or `;`.
- `dknet.cfgparser` provides `read_cfg(path)`, which returns the `[section]` blocks of a network description as a list of `Section` objects. An option that appears before the first section raises `ValueError`. Related helpers:
  - `layer_type_from_section` maps a header such as `[conv]` or `[maxpool]` to a `LayerType`. Unknown headers map to `LayerType.BLANK`.
  - `is_network` tells whether a section is `[net]` or `[network]`.
  - `parse_data`, `parse_yolo_mask` and `parse_float_list` split comma-separated values.
- `dknet.netoptions` provides `parse_net_options(options)`, which turns the options of a `[net]` section into a `NetOptions` dataclass. This covers batch and subdivisions, input size, augmentation settings and the learning-rate `Policy`. The extra fields depend on the policy: step and scale, steps and scales, or gamma. It raises `ValueError` in these cases:
  - subdivisions is zero;
  - no input size is given;
  - a `steps` policy has no steps or no scales.

  `get_policy` falls back to `Policy.CONSTANT` for unknown names.
- `dknet.weights` reads and writes the binary weight format on binary streams:
  - `WeightsHeader` holds the version and the count of images seen. Its `transpose` property tells whether connected weights are stored transposed.
  - `ConvolutionalWeights` can optionally carry batch-norm statistics and 8-bit quantization data.
  - `ConnectedWeights` holds the weights of a fully connected layer.
  - `BatchnormWeights` holds scales and running statistics.
  - `QuantParams` holds a scale and a zero point.
  - `transpose_matrix` transposes a flat row-major matrix.

  A truncated file raises `EOFError`.
- `dknet.image` provides `Image`, which stores float32 data in `(c, h, w)` layout. It supports:
  - pixel access and bilinear sampling;
  - fill, scale, clamp and normalize;
  - flip, transpose and quarter-turn rotation;
  - crop, resize, letterbox, center and random crops;
  - threshold.

  `load_image(path, w, h, c)` reads a file with Pillow and scales the values to [0, 1]. `save_image(image, name, fmt, quality)` writes `name` plus the extension of the `ImageFormat` and returns the path. Both raise `OSError` on failure.
- `dknet.transform` provides:
  - `image_distance`;
  - `ghost_image`, `blocky_image` and `censor_image`;
  - `collapse_image_layers`, `collapse_images_vert` and `collapse_images_horz`;
  - `place_image`, `rotate_image` and `rotate_crop_image`;
  - `blend_image`;
  - random augmentation through `random_augment_args`, which returns `AugmentArgs`, and `random_augment_image`.
- `dknet.maxpool` provides `MaxPoolLayer`:
  - `forward` pools float input.
  - `forward_quant` pools uint8 input. When `quant_stop` is set it also dequantizes into `output`, using `activ_quant`.
  - `backward` adds the layer's `delta` into the previous layer's delta at the winning positions.
  - `resize` reallocates the buffers for a new input size.
- `dknet.normalization` provides `NormalizationLayer`, which does local response normalization across channels. Its `backward` overwrites the given delta with an approximate gradient.

Randomised operations take an optional `rng` argument, which is a `random.Random` instance. Passing one makes the results reproducible. These are `Image.random`, `Image.random_crop`, `random_augment_args` and `random_augment_image`.

## Installation

```
pip install .
pip install .[test]   # with pytest
```

## Example

```python
from dknet.cfgparser import read_cfg, is_network
from dknet.netoptions import parse_net_options
from dknet.image import Image
from dknet.maxpool import MaxPoolLayer

sections = read_cfg("tiny.cfg")          # a file whose first section is [net]
assert is_network(sections[0])
net = parse_net_options(sections[0].options)

im = Image.zeros(net.w, net.h, net.c)
boxed = im.letterbox(416, 416)

pool = MaxPoolLayer(1, 4, 4, 1, 2, 2, 0)
out = pool.forward([float(v) for v in range(16)])   # 2 x 2 output
```

## What it does not do

- It does not assemble a whole network from a configuration file. `read_cfg` returns the sections and their options. The only layers in the package are `MaxPoolLayer` and `NormalizationLayer`.
- It has no training loop, no inference driver and no command-line program.
- It does not convert colour spaces or adjust hue, saturation or exposure.
- It does not draw boxes or labels onto images.
- It does not load matrices from CSV.