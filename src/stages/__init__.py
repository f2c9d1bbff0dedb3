"""Pipeline stages.

Each stage is an independently invokable unit triggered by exactly one
kind of inbound event. Stages hold no state across invocations.
"""
