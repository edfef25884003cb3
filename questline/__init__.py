"""questline: quest and task progression backend."""
