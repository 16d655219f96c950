"""EBH construction materials inventory backend."""
