"""Default backend configuration for pymlm.

Controls what ``backend='auto'`` resolves to.

Resolution order (first match wins):
    1. Programmatic override via :func:`set_backend`.
    2. The ``PYMLM_BACKEND`` environment variable.
    3. Hardware detection (see :mod:`pymlm._backends`).

Valid names are ``"cpu"``, ``"gpu"``, ``"pytorch"`` and ``"auto"``
(case-insensitive).

Examples:
    Pin the FP64 CPU solver from the shell::

        export PYMLM_BACKEND=cpu

    Or programmatically::

        import pymlm
        pymlm.set_backend("cpu")

    Restore hardware detection::

        pymlm.set_backend("auto")
"""

from __future__ import annotations

import os

_VALID_BACKENDS = {"cpu", "gpu", "pytorch", "auto"}

# None means no programmatic override has been set.
_backend_override: str | None = None


def get_default_backend() -> str:
    """Return the configured backend name, or ``"auto"`` if none is set."""
    if _backend_override is not None and _backend_override != "auto":
        return _backend_override

    env = os.environ.get("PYMLM_BACKEND", "").strip().lower()
    if env in _VALID_BACKENDS:
        return env

    return "auto"


def set_backend(name: str) -> None:
    """Override the default backend.

    Args:
        name: One of ``"cpu"``, ``"gpu"``, ``"pytorch"`` or ``"auto"``.

    Raises:
        ValueError: If *name* is not a recognised backend.
    """
    global _backend_override
    normalised = name.strip().lower()
    if normalised not in _VALID_BACKENDS:
        raise ValueError(
            f"Unknown backend '{name}'. Choose from: {sorted(_VALID_BACKENDS)}"
        )
    _backend_override = normalised
