"""Cluster API tools."""
