"""Order lifecycle management: enums, state machine, repository and service."""
