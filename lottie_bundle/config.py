"""
lottie-bundle runtime settings.

Read from the environment at import time. Call configure() before
building bundles to override them programmatically.

    LOTTIE_BUNDLE_GENERATOR         generator string written to manifests
    LOTTIE_BUNDLE_FETCH_TIMEOUT     seconds before a remote fetch gives up
    LOTTIE_BUNDLE_DEDUP_THRESHOLD   perceptual-hash distance below which
                                    two images count as duplicates
    LOTTIE_BUNDLE_LOG_LEVEL         log level used by the command line
"""

import os

__version__ = "0.4.0"

GENERATOR = os.environ.get("LOTTIE_BUNDLE_GENERATOR", f"lottie-bundle {__version__}")
FETCH_TIMEOUT = float(os.environ.get("LOTTIE_BUNDLE_FETCH_TIMEOUT", "30"))
DEDUP_THRESHOLD = int(os.environ.get("LOTTIE_BUNDLE_DEDUP_THRESHOLD", "5"))
LOG_LEVEL = os.environ.get("LOTTIE_BUNDLE_LOG_LEVEL", "INFO").upper()


def configure(
    generator: str = None,
    fetch_timeout: float = None,
    dedup_threshold: int = None,
    log_level: str = None,
):
    """Override runtime settings. Call before any bundle is built."""
    global GENERATOR, FETCH_TIMEOUT, DEDUP_THRESHOLD, LOG_LEVEL
    if generator is not None:
        GENERATOR = generator
    if fetch_timeout is not None:
        FETCH_TIMEOUT = float(fetch_timeout)
    if dedup_threshold is not None:
        DEDUP_THRESHOLD = int(dedup_threshold)
    if log_level is not None:
        LOG_LEVEL = log_level.upper()
