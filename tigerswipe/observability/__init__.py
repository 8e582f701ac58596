"""Logging and in-process telemetry"""
