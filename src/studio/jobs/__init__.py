"""Asynchronous job tracking: status vocabulary, scheduler and poll sessions."""
