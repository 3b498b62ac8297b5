"""YachtOps fleet operations backend."""
