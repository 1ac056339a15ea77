"""
Tenancy engine

Domain matching, host → subsite resolution, the per-request subsite context,
the host-map artifact, accessible-subsite queries and template duplication.
"""
