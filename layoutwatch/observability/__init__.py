"""Observability - logging setup and in-process telemetry"""
