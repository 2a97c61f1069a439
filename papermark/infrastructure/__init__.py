"""Infrastructure — database engine, logging, security primitives and outbound HTTP clients."""
