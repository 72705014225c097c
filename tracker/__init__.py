"""Residency assessment tracker app.

Models, serializers, services and views for the postgraduate evaluation
workflow: batches, the four evaluation modules, acknowledgement and
reporting.
"""
