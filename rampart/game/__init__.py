"""Game-side packages: core rules, infrastructure and the simulation app."""
