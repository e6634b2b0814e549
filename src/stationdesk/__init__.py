"""StationDesk — offline render core for station audio production."""

__version__ = "0.3.0"
