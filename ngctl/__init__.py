"""
ngctl - node-group capacity reconciliation and discovery for EKS clusters.

This package scales existing node-group CloudFormation stacks with minimal
template changes and summarizes the node groups a cluster already has.
"""

__version__ = "0.1.0"
__author__ = "ngctl maintainers"
