"""Spend sentinel: explainable risk scoring for personal expenses."""

__version__ = "0.1.0"
