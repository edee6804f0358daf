"""Roster service layer: config, persistence backends, session flows and the command registry."""
