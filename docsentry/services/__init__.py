"""DocSentry persisted-state services (checkpoint and result logs)."""
