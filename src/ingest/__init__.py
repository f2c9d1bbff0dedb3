"""Extraction workload.

This module starts bulk extraction jobs and holds the job-side task
that splits a landed object into per-row extracted events.
"""
