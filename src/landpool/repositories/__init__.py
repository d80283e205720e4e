"""Persistence collaborator protocols."""
