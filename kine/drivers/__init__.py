"""Driver registry and endpoint configuration parsing."""