"""GitHub webhook ingress resources."""
