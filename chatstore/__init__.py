"""Client-held conversation store with optimistic message delivery."""
