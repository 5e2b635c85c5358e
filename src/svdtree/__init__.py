# Copyright (c) 2022 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from . import bits
from .bindings import (
    Access,
    BitRange,
    RegisterProperties,
)
from .bits import NumberFormat
from .errors import (
    SvdError,
    SvdParseError,
    SvdDefinitionError,
    SvdMemoryError,
    SvdPathError,
    SvdKeyError,
)
from .parsing import (
    parse,
    parse_descriptor,
    read_descriptor,
    Options,
)
from .path import NodePath
from .device import (
    Cluster,
    Device,
    EnumeratedValue,
    EnumerationMap,
    Field,
    Peripheral,
    Register,
)

import importlib.metadata
import logging

__version__ = importlib.metadata.version("svdtree")


def _init_logger() -> logging.Logger:
    formatter = logging.Formatter("{message}", style="{")
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    logger = logging.getLogger("svdtree")
    logger.setLevel(logging.ERROR)
    logger.addHandler(handler)

    return logger


# logging.Logger instance used for log output from svdtree
log = _init_logger()

__all__ = [
    # from bindings
    "Access",
    "BitRange",
    "RegisterProperties",
    # from bits
    "NumberFormat",
    "bits",
    # from errors
    "SvdError",
    "SvdParseError",
    "SvdDefinitionError",
    "SvdMemoryError",
    "SvdPathError",
    "SvdKeyError",
    # from parsing
    "parse",
    "parse_descriptor",
    "read_descriptor",
    "Options",
    # from path
    "NodePath",
    # from device
    "Cluster",
    "Device",
    "EnumeratedValue",
    "EnumerationMap",
    "Field",
    "Peripheral",
    "Register",
    # other
    "log",
    "__version__",
]
