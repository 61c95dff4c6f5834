"""Kubeconfig model, Spaces URLs and Kubernetes API access."""
