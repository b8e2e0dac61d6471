"""Single-endpoint webhook ingress with caller address filtering."""
