"""Automation API deployer for the ECS blue/green stack."""
