"""Application layer - casos de uso y puertos."""
