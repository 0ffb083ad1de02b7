"""Application layer – event log, bus, reactions, dispatch, providers, workers."""
