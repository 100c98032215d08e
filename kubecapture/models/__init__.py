"""Data models for the capture agent."""
