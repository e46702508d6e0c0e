"""Systemd unit generation and reconciliation for rclone mounts and sync jobs."""
