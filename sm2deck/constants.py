"""
SM-2 algorithm constants.

This module contains the static parameters of the SM-2 scheduling rules.
No runtime configuration or path defaults - pure constants only.
"""

# Ease factor given to every new card.
DEFAULT_EASE_FACTOR: float = 2.5

# The ease factor never drops below this floor.
MIN_EASE_FACTOR: float = 1.3

# Grades are integers on a 0-10 scale; 0 is a blackout, 10 is perfect recall.
MIN_GRADE: int = 0
MAX_GRADE: int = 10

# Reviews graded at or above this value count as a successful recall.
PASSING_GRADE: int = 3

# Fixed intervals (in days) for the first two successful reviews and for a lapse.
FIRST_INTERVAL: int = 1
SECOND_INTERVAL: int = 6
LAPSE_INTERVAL: int = 1
