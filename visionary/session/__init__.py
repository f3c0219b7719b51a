"""Session state: persisted image history and the undo chain."""
