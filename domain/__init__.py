# domain - Typed entities shared across layers
