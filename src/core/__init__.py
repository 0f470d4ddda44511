"""Core infrastructure package for shared application functionality.

- **config**: Centralized configuration management with environment support
- **constants**: Shared constants, including input validation labels
- **context**: Correlation and request ID management
- **exceptions**: Exception hierarchy mapped to HTTP responses
- **logging**: Structured logging with cloud provider formatters
- **observability**: Distributed tracing with OpenTelemetry
- **types**: Type aliases for loosely structured upstream data
"""
