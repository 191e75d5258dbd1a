"""Control module - volume lifecycle reconciliation."""

from instancevol.control.reconciler import VolumeReconciler, generate_name

__all__ = ["VolumeReconciler", "generate_name"]
