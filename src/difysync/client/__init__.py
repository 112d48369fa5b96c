"""HTTP client for the Dify console API.

Classes:
    :class:`PlatformClient` -- blocking client backed by :class:`httpx.Client`.

Example::

    from difysync.client import PlatformClient

    with PlatformClient(config) as client:
        yaml_text = client.export_app(app_id)
"""

from difysync.client.platform import PlatformClient, import_status_message

__all__ = ["PlatformClient", "import_status_message"]
