"""Application layer: storage ports and the ingestion/delivery use cases."""
