from aggregator.api.server import AggregationServer, create_app

__all__ = ["AggregationServer", "create_app"]
