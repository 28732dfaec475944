"""mvndash — a multi-tab terminal dashboard for Maven builds."""

__version__ = "0.1.0"
