"""Search keys and the cascading provider lookup."""
