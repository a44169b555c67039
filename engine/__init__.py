"""Switch engine: git introspection, URL resolution and manifest rewriting."""
