"""Type aliases for dynamic data structures throughout the application.

The ANAF web services answer with loosely structured JSON. These aliases give
that data a name so signatures stay readable without pretending to a schema
the upstream does not guarantee.
"""

from typing import Any

# Decoded upstream response body: a JSON object, or raw text (e.g. an HTML
# firewall page) when the body is not JSON
type UpstreamBody = dict[str, Any] | list[Any] | str | None

# Context dictionary for logging additional information
type LogContext = dict[str, Any]

# Context dictionary for error details and debugging information
type ErrorContext = dict[str, Any]
