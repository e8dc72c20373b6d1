"""Shared configuration for the topology program and the deployer CLI."""
