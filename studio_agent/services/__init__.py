"""Host-side services the engine collaborates with."""
