"""difysync -- sync Dify application DSL files with a Dify console.

This package provides the ``dify`` command-line tool. It imports and exports
application definitions (YAML DSL documents) through the Dify console API,
and captures console session tokens from the user's browser through a local
relay server that a browser extension polls.

Typical workflow::

    dify login                      # open browser, wait for the extension
    dify export <app-id> app.yaml   # pull an app definition
    dify update <app-id> app.yaml   # push it back

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the package.
    config: ``.difyrc`` resolution and persistence.
    dsl: Local structural validation of DSL documents.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
