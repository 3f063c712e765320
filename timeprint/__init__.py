"""Time Print - batch restoration of old photographs."""

__version__ = '0.1.0'
