"""RAM analysis orchestrator service package."""
