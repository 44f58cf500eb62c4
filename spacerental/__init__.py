"""Shared building blocks for the space rental booking service."""
