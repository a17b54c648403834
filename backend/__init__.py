"""FreightWise backend packages."""
