"""
Process-wide runtime preparation.

Bundled Chromium builds often ship their shared libraries next to the
binary. The library directory is added to LD_LIBRARY_PATH once, at
startup, before any browser is launched. Request handlers never touch
the process environment.
"""

import logging
import os
from typing import MutableMapping, Optional

logger = logging.getLogger(__name__)


def prepare_runtime_environment(settings,
                                environ: Optional[MutableMapping[str, str]] = None) -> Optional[str]:
    """
    Prepend settings.pdf_library_path to LD_LIBRARY_PATH.

    Idempotent: calling it twice does not duplicate the entry.

    Returns:
        The resulting LD_LIBRARY_PATH, or None when no library path is configured
    """
    environ = os.environ if environ is None else environ

    executable = settings.chromium_executable_path
    if executable and not os.path.exists(executable):
        logger.warning(f"CHROMIUM_EXECUTABLE_PATH not found: {executable}")

    library_path = settings.pdf_library_path
    if not library_path:
        return None

    if not os.path.isdir(library_path):
        logger.warning(f"PDF_LIBRARY_PATH does not exist: {library_path}")

    parts = [p for p in environ.get("LD_LIBRARY_PATH", "").split(os.pathsep) if p]
    if library_path not in parts:
        parts.insert(0, library_path)
        environ["LD_LIBRARY_PATH"] = os.pathsep.join(parts)
        logger.info(f"LD_LIBRARY_PATH prepared: {environ['LD_LIBRARY_PATH']}")

    return environ["LD_LIBRARY_PATH"]
