"""HTTP API for nest-heating."""
