"""Recommendation service: environment config, concrete stores, wiring, batch jobs and CLI scripts."""
