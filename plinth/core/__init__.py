"""Core infrastructure package for shared application functionality.

This package provides the foundational components used across all layers
of the Plinth application:

- **config**: Process settings and immutable configuration slices
- **context**: Request context and correlation ID management
- **exceptions**: Closed exception taxonomy and the canonical ErrorRecord
- **masking**: Recursive redaction of sensitive fields before logging
- **logging**: Structured logging with JSON and colorized console output
- **types**: Type aliases for better code clarity

None of these modules import the web framework, so they can be reused by
workers and scripts as well as by the HTTP API.
"""
