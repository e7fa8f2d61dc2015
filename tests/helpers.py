"""Assertion helpers shared by the runtime tests."""


def warning_messages(logger) -> list:
    """First positional argument of every warning() call."""
    return [call.args[0] for call in logger.warning.call_args_list]


def error_messages(logger) -> list:
    """First positional argument of every error() call."""
    return [call.args[0] for call in logger.error.call_args_list]
