"""JSON response class using orjson serialization.

Set as the default response class of the application, so lookup results
and error bodies are all rendered by orjson. Non-ASCII characters (the
Romanian diacritics in error labels and addresses) are emitted as UTF-8,
not as ``\\u`` escapes.
"""

from typing import Any

import orjson
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ORJSONResponse(JSONResponse):
    """FastAPI Response class using orjson for JSON serialization.

    Attributes:
        media_type: The media type for the response.
    """

    media_type = "application/json"

    def render(self, content: Any) -> bytes:  # noqa: ANN401 - accepts any JSON-serializable content
        """Render the content as JSON using orjson.

        Field order is preserved so bodies read in the documented order.

        Args:
            content: The content to serialize to JSON.

        Returns:
            bytes: The JSON-encoded bytes.
        """
        if isinstance(content, BaseModel):
            content = content.model_dump(mode="json")

        return orjson.dumps(content, option=orjson.OPT_NON_STR_KEYS)
