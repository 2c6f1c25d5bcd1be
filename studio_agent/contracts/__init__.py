"""Typed data shapes shared across the engine and its wire boundaries."""
