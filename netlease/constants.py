"""Centralized constants for the fixed-lease network optimizer.

Defaults for facility parameters, the service-distance penalty, the model
complexity ceilings and the isolated solve resource limits live here so the
models, the guard and the supervisor agree on them.
"""

# ============================================================================
# FACILITY PARAMETER DEFAULTS
# ============================================================================

#: Fixed lease cost per open facility per planning year ($)
DEFAULT_FIXED_COST_PER_FACILITY = 100_000.0

#: Transport cost per mile ($/mile), used to derive distance from unit cost
DEFAULT_COST_PER_MILE = 2.5

#: Share of demand that must be served within DEFAULT_MAX_DISTANCE_MILES
DEFAULT_SERVICE_LEVEL_REQUIREMENT = 0.95

#: Service distance threshold (miles)
DEFAULT_MAX_DISTANCE_MILES = 1_000.0

#: Facility count bounds
DEFAULT_MIN_FACILITIES = 1
DEFAULT_MAX_FACILITIES = 10

#: Annual throughput for sites missing from the capacity map (units)
DEFAULT_CAPACITY_PER_FACILITY = 1_000_000.0

#: Objective weights (need not sum to 1)
DEFAULT_WEIGHT_COST = 0.6
DEFAULT_WEIGHT_SERVICE_LEVEL = 0.3

#: Penalty per mile beyond the service threshold, per unit shipped
SERVICE_PENALTY_RATE = 10.0


# ============================================================================
# MODEL COMPLEXITY CEILINGS
# ============================================================================

MAX_MODEL_VARIABLES = 1_000
MAX_MODEL_CONSTRAINTS = 500

#: Nonzero coefficients across the objective and all constraints
MAX_MODEL_COEFFICIENTS = 100_000

#: Serialized (pickled) model size shipped to the solve process (MB)
MAX_MODEL_SIZE_MB = 50.0


# ============================================================================
# ISOLATED SOLVE LIMITS
# ============================================================================

#: Timeout formula: base + per-variable + per-constraint, clamped
TIMEOUT_BASE_SECONDS = 60.0
TIMEOUT_PER_VARIABLE_SECONDS = 0.1
TIMEOUT_PER_CONSTRAINT_SECONDS = 0.2
MIN_TIMEOUT_SECONDS = 120.0
MAX_TIMEOUT_SECONDS = 600.0

#: Resident memory ceiling for the solve process (MB)
DEFAULT_MEMORY_LIMIT_MB = 2_048.0

#: How often the supervisor samples the solve process (seconds)
DEFAULT_POLL_INTERVAL_SECONDS = 0.05

#: Wait after SIGTERM before escalating to SIGKILL (seconds)
TERMINATE_GRACE_SECONDS = 1.0


# ============================================================================
# SOLUTION DECODING
# ============================================================================

#: Binary variables above this value are read as 1
BINARY_ACTIVE_THRESHOLD = 0.5

#: Relative tolerance for demand totals produced by the scaler
DEMAND_TOTAL_TOLERANCE = 1e-6


def recommended_timeout(num_variables: int, num_constraints: int) -> float:
    """Wall-clock timeout (seconds) for a model of the given size.

    60s + 100ms per variable + 200ms per constraint, clamped to [120s, 600s].

    Args:
        num_variables: Number of decision variables
        num_constraints: Number of constraints

    Returns:
        Timeout in seconds
    """
    timeout = (
        TIMEOUT_BASE_SECONDS
        + num_variables * TIMEOUT_PER_VARIABLE_SECONDS
        + num_constraints * TIMEOUT_PER_CONSTRAINT_SECONDS
    )
    return min(max(timeout, MIN_TIMEOUT_SECONDS), MAX_TIMEOUT_SECONDS)
