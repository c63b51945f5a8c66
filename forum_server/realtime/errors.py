class HubNotRunning(RuntimeError):
    """The hub's coordinator is not running (not started yet, or shut down)."""
