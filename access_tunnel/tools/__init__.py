"""Building blocks of the provisioning and tunnel workflow."""
