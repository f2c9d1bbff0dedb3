"""Lifecycle event layer.

This module defines the typed events stages exchange on the bus.
It also owns publishing and the subscription rules that route events.
"""
