"""Install Istio on a GKE cluster and apply the tutorial add-ons."""

__version__ = "0.1.0"
