# -*- coding: utf-8 -*-
"""
Hypothesis profiles for the wire property tests.

Frames here are small (a PeerAddrs body tops out near 5 KiB at the default
peer limit), so example counts can be high without slowing the suite.

- HYPOTHESIS_PROFILE=dev|ci|stress picks a profile explicitly.
- Otherwise "ci" when the CI env var is truthy, "dev" locally.
"""
from __future__ import annotations

import os
from typing import Final

from hypothesis import HealthCheck, settings

# Large PeerAddrs lists trip data_too_large / too_slow on slow runners; the
# properties don't care how long generation takes.
_SUPPRESS: Final = (HealthCheck.too_slow, HealthCheck.data_too_large)

settings.register_profile("dev", max_examples=200, deadline=None, suppress_health_check=_SUPPRESS)
settings.register_profile(
    "ci",
    max_examples=500,
    deadline=None,
    suppress_health_check=_SUPPRESS,
    derandomize=True,
    print_blob=True,
)
settings.register_profile(
    "stress",
    max_examples=5000,
    deadline=None,
    suppress_health_check=_SUPPRESS,
    derandomize=True,
)


def _env_truthy(name: str) -> bool:
    return (os.getenv(name) or "").lower() not in ("", "0", "false", "no", "off")


settings.load_profile(os.getenv("HYPOTHESIS_PROFILE") or ("ci" if _env_truthy("CI") else "dev"))
