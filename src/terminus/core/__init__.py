"""Core file operation engine and modal input state machine."""
