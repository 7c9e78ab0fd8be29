"""Shooting Pulse - dataset implementations."""
