# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from typing import Any, Iterable, Union

from .path import NodePath


class SvdError(Exception):
    """Base class for errors raised by the library."""

    ...


class SvdParseError(SvdError):
    """Raised when an error occurs while reading or building a SVD descriptor."""

    ...


class SvdDefinitionError(SvdError, ValueError):
    """Raised when unrecoverable errors occur due to an invalid definition in the descriptor."""

    def __init__(self, elements: Iterable[Any], explanation: str):
        elements_str = "\n".join(f"  * {e!r}" for e in elements)
        super().__init__(
            f"Invalid SVD descriptor element(s):\n{elements_str}\n{explanation}"
        )


class SvdMemoryError(SvdError, BufferError):
    """Raised when an invalid value operation was attempted on a SVD element."""

    ...


class SvdPathError(SvdError):
    """Raised when trying to access a nonexistent/invalid SVD path."""

    def __init__(
        self, path: Union[str, NodePath], source: Any, explanation: str = ""
    ) -> None:
        formatted_explanation = "" if not explanation else f" ({explanation})"
        message = (
            f"{source!s} does not contain an element '{path}'{formatted_explanation}"
        )

        super().__init__(message)


class SvdKeyError(SvdPathError, KeyError):
    """Raised when given an invalid child element name in a device, peripheral or register."""

    def __str__(self) -> str:
        # KeyError would otherwise quote the whole message
        return str(self.args[0])
