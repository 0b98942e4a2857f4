"""Core utilities for the Workhub chat backend."""
