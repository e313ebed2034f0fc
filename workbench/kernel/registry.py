"""
Workbench Kernel — Module Registry

Turns linked module code into a reference the preview document can import.
The preview assembler registers every module of a build and releases them
when the build is superseded.
"""

from __future__ import annotations

import base64
from collections import Counter

DATA_URL_PREFIX = "data:text/javascript;base64,"


class ModuleRegistry:
    """
    Abstract registry interface.
    Implement with blob URLs or a static file host; data: URLs by default.
    """

    def register(self, code: str, path: str | None = None) -> str:
        """Store module code and return an importable reference."""
        raise NotImplementedError

    def release(self, reference: str) -> None:
        """Drop one registration of `reference`. Unknown references are ignored."""
        raise NotImplementedError


class InlineModuleRegistry(ModuleRegistry):
    """
    Encodes each module as a base64 data: URL.

    Code registered for a path is tagged with a sourceURL comment naming
    that path, so two files with identical code still get distinct URLs and
    load as separate module instances. The same file with unchanged code
    yields the same URL across builds, so registrations are
    reference-counted and a URL stays live until every build holding it
    releases it.
    """

    def __init__(self) -> None:
        self._live: Counter[str] = Counter()

    def register(self, code: str, path: str | None = None) -> str:
        if path is not None:
            code = f"{code}\n//# sourceURL=@vfs{path}\n"
        encoded = base64.b64encode(code.encode("utf-8")).decode("ascii")
        reference = DATA_URL_PREFIX + encoded
        self._live[reference] += 1
        return reference

    def release(self, reference: str) -> None:
        if self._live[reference] <= 1:
            self._live.pop(reference, None)
        else:
            self._live[reference] -= 1

    def is_live(self, reference: str) -> bool:
        return self._live[reference] > 0

    @property
    def live_count(self) -> int:
        """Number of distinct live references."""
        return len(self._live)


def decode_reference(reference: str) -> str:
    """Module code behind a data: URL produced by InlineModuleRegistry."""
    if not reference.startswith(DATA_URL_PREFIX):
        raise ValueError(f"Not an inline module reference: {reference[:40]}")
    return base64.b64decode(reference[len(DATA_URL_PREFIX):]).decode("utf-8")
