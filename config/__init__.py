"""Optimizer configuration: bundled YAML defaults plus typed validation."""
