"""Type aliases for the factory fixtures in conftest.py.

Kept out of conftest so test modules can import them directly
(``from tests._helpers import MakeFeature``).
"""

from __future__ import annotations

from collections.abc import Callable

from featlink.models import Feature, Relationship

MakeFeature = Callable[..., Feature]
RawLink = Callable[..., Relationship]
