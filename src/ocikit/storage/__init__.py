"""Registry transport layer: protocol, reference parsing, errors, and the HTTP implementation."""
