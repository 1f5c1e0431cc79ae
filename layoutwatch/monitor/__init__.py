"""Monitor - extraction, snapshot storage, diffing and the cycle orchestrator"""
