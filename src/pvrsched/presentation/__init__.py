"""Rendering of recordings for the command and web front ends."""
