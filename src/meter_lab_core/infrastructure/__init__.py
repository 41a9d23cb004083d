"""
Infrastructure Layer

Adapters for the external collaborators: vision inference, object storage, and the experiment store.
"""
