"""Infrastructure layer: storage backends and persistence."""
