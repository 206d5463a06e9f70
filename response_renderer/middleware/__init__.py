"""Exception handlers for applications using the renderer."""
