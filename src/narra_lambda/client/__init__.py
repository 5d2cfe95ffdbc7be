"""Client side utilities: audio level monitor, archive export and banner visibility."""
