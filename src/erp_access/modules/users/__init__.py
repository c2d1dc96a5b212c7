"""Users module - subjects that roles are assigned to."""
