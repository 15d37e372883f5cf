"""Provider transports.

Each provider module implements the async job pattern without waiting:
  submit → provider job id;  fetch status → raw payload for the normalizer.
Polling cadence and interpretation live in the reconciler, not here.
"""
