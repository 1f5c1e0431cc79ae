"""Runtime - cancellation and cycle scheduling"""
