"""Infrastructure - event bus, ejecución, histórico y stream de trades."""
