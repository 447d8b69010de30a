"""Model catalog and the streaming chat client."""
