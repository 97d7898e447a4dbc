"""Renderers turning traces, distributions and efficiency runs into reports."""
