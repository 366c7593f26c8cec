"""Per-type step handlers and the dispatcher that runs them."""
