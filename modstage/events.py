"""
Canonical event names emitted by the module loader and bootstrap pipeline.
Stable surface for hooks and observability.
"""

# Module lifecycle
MODULE_REGISTERED = "module:registered"
MODULE_LOADING = "module:loading"
MODULE_LOADED = "module:loaded"
MODULE_FAILED = "module:failed"
MODULE_SKIPPED = "module:skipped"  # Gate unmet; recorded as failed, not raised

# Concurrent activation levels
LEVEL_START = "level:start"
LEVEL_COMPLETE = "level:complete"

# Bootstrap pipeline
BOOTSTRAP_STEP = "bootstrap:step"
BOOTSTRAP_COMPLETE = "bootstrap:complete"
BOOTSTRAP_FAILED = "bootstrap:failed"

ALL_EVENTS = [
    MODULE_REGISTERED,
    MODULE_LOADING,
    MODULE_LOADED,
    MODULE_FAILED,
    MODULE_SKIPPED,
    LEVEL_START,
    LEVEL_COMPLETE,
    BOOTSTRAP_STEP,
    BOOTSTRAP_COMPLETE,
    BOOTSTRAP_FAILED,
]
