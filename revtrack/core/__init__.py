"""Revision lifecycle & query engine: pure rules shared by every entry point."""
