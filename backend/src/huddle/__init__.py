"""Huddle realtime core."""
