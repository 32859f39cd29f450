"""HealWise appointment scheduling service."""
