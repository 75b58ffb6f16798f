"""Terraform-style provisioning for CloudFront VPC origins and CodeDeploy."""

__version__ = "0.1.0"
