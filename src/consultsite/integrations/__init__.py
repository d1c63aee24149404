"""Clients for the external services the site talks to."""
