"""Services backing the branch pruner: git access, persistence and repository state."""
