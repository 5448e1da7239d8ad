"""Operation groups backing :class:`pypetlibro.client.PetlibroClient`."""
