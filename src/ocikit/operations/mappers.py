"""
Error mapping and CLI utilities.

Provides centralized exception-to-exit-code mapping and CLI command wrappers
to ensure consistent error handling across all Typer commands.
"""
from __future__ import annotations

import logging
from typing import Callable, TypeVar

import typer

logger = logging.getLogger(__name__)

T = TypeVar('T')

EXIT_CODES = {
    "ValueError": 2,
    "ValidationError": 2,
    "BadParameter": 2,
    "ManifestParseError": 2,
    "UnsafeLayerPath": 2,
    "LayerFileNotFound": 3,
    "FileNotFoundError": 3,
    "OciNotFound": 4,
    "OciAuthError": 5,
    "PlatformNotFound": 6,
    "UnsupportedIndexOperation": 7,
    "MissingExtractionDependency": 8,
}


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to standardized exit code.

    Returns:
    - 0: Success (never returned here)
    - 1: Transport or unknown error
    - 2: Invalid input (ValueError, ManifestParseError, UnsafeLayerPath, BadParameter)
    - 3: Local file missing (LayerFileNotFound)
    - 4: Manifest or blob not found in registry (OciNotFound)
    - 5: Authentication failed (OciAuthError)
    - 6: No manifest for the requested platform (PlatformNotFound)
    - 7: Operation not supported on an index (UnsupportedIndexOperation)
    - 8: Decompression/tar support missing (MissingExtractionDependency)

    Args:
        exc: Exception to map

    Returns:
        Exit code (1 as fallback for unknown exceptions)
    """
    return EXIT_CODES.get(type(exc).__name__, 1)


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Executes the given function and maps any exceptions to appropriate
    exit codes using typer.Exit, printing the failure to stderr. This
    centralizes error handling so CLI commands don't need individual
    try/except blocks.

    Args:
        func: Function to execute

    Returns:
        Function result if successful

    Raises:
        typer.Exit: With appropriate exit code if function raises exception
    """
    try:
        return func()
    except typer.Exit:
        raise
    except Exception as e:
        from .printers import print_error
        logger.debug("Command failed", exc_info=True)
        print_error(e)
        raise typer.Exit(code=exit_code_for(e)) from e
