"""Navigation, derivation and the kubeconfig merge engine behind ``upctx ctx``."""
