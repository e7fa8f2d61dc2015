"""Built-in event names emitted by the Runtime.

Both carry ``{"context": RuntimeContext}`` as data.
"""

RUNTIME_INITIALIZED = "runtime:initialized"
RUNTIME_SHUTDOWN = "runtime:shutdown"
