"""Application settings.

One frozen object passed to ``App``. The ``perch run`` flags override
``host``, ``port`` and ``log_level`` at launch.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Settings for an App; every field has a default::

        app = App(AppConfig(port=3000, access_log=True))
    """

    # Binding
    host: str = "127.0.0.1"
    port: int = 8000
    root_path: str = ""  # set when a proxy mounts the app under a path prefix

    # Errors and logging
    debug: bool = False  # show exception details in 500 bodies
    log_level: str = "info"
    access_log: bool = False  # prepend AccessLogMiddleware at freeze time

    # Responses
    server_header: str | None = None  # omitted when None

    # Request bodies larger than this get 413; None disables the check
    max_content_length: int | None = 16 * 1024 * 1024
