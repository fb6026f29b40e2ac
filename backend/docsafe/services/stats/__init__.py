from .service import StatsService, stats_service

__all__ = ["StatsService", "stats_service"]
