"""
_backend.py
===========
Which numeric backends graphsplit can run on, and how a requested name maps
onto one of them.

  python        numpy reference code; always present.
  cpu-parallel  numba ``prange`` kernels from _kernels.py; present when numba
                imports.

The functions here only inspect the environment.  Reporting what they find
is left to _logging.py.
"""

from typing import List, Optional, Tuple

from graphsplit._errors import ArgumentError


# ============================================================================ #
# Detection
# ============================================================================ #


def check_numba_available() -> bool:
    """True when numba can be imported."""
    try:
        import numba  # noqa: F401
    except ImportError:
        return False
    return True


def get_available_backends() -> List[str]:
    """
    Installed backends, slowest first.

    Returns
    -------
    list[str]
        ``['python']`` or ``['python', 'cpu-parallel']``.
    """
    backends = ["python"]
    if check_numba_available():
        backends.append("cpu-parallel")
    return backends


def get_best_backend() -> str:
    """The fastest installed backend (the last of get_available_backends())."""
    return get_available_backends()[-1]


def resolve_backend(backend: str) -> str:
    """
    Map a requested backend name to an installed backend.

    Parameters
    ----------
    backend : str
        'best', 'python' or 'cpu-parallel'.

    Returns
    -------
    str
        An entry of get_available_backends().

    Raises
    ------
    ArgumentError
        For an unknown name, or 'cpu-parallel' without numba.

    Examples
    --------
    >>> resolve_backend('python')
    'python'
    """
    if backend == "best":
        return get_best_backend()

    available = get_available_backends()
    if backend in available:
        return backend
    raise ArgumentError(
        f"Backend '{backend}' not available. "
        f"Available backends: {', '.join(available)}"
    )


# ============================================================================ #
# Kernels
# ============================================================================ #


def import_cpu_kernels() -> Tuple[bool, Optional[object], Optional[object]]:
    """
    Load the numba kernels lazily.

    Returns
    -------
    (ok, power_kernel, transitivity_kernel)
        ``(False, None, None)`` when numba is missing.
    """
    try:
        from graphsplit._kernels import _fiedler_power_njit, _transitivity_njit
    except ImportError:
        return (False, None, None)
    return (True, _fiedler_power_njit, _transitivity_njit)


def get_backend_info() -> dict:
    """
    Summary of the backend situation, for bug reports and logging.

    Returns
    -------
    dict
        ``numba_available``, ``backends``, ``best_backend`` and
        ``cpu_kernels_available``.

    Examples
    --------
    >>> get_backend_info()['best_backend']
    'cpu-parallel'
    """
    kernels_ok, _, _ = import_cpu_kernels()
    return {
        "numba_available": check_numba_available(),
        "backends": get_available_backends(),
        "best_backend": get_best_backend(),
        "cpu_kernels_available": kernels_ok,
    }
