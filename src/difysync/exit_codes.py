"""Numeric process exit codes.

The ``dify`` tool reports every failure with a single generic code so that
shell scripts only need to test for non-zero. Interrupts follow the usual
``128 + SIGINT`` convention.

Example::

    $ dify list
    $ echo $?
    1   # not logged in, or the platform rejected the request
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""Any reported failure (platform error, validation error, login timeout)."""

EXIT_INTERRUPTED = 130
"""The command was cancelled with Ctrl-C."""
