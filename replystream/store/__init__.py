"""Chat message stores."""
