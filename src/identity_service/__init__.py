"""Identity Service: local and delegated authentication with server-side sessions."""
