"""
Geofence Journeys - journey inference over device geofencing events
"""

from geofence_journeys.core.journey_calculator import calculate_journey_counts, calculate_journey_list

__all__ = ["calculate_journey_counts", "calculate_journey_list"]
