"""Business services: permissions, workflow, uploads, data transfer, notifications."""
