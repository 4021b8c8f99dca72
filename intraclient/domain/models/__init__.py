"""Domain models shared by the request pipeline."""
