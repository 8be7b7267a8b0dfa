"""Campus SIS API."""
