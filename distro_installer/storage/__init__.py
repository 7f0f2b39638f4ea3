"""Disk probing, partition planning and command execution primitives."""
