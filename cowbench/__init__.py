"""Placement trace and storage efficiency analysis for cloned VM disks on Ceph."""
