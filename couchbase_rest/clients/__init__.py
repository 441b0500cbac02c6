"""Request layer: pipeline primitives and the httpx-backed client."""
