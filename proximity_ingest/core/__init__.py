"""Core module - Pipeline de ingesta de proximidad.

Estructura:
- transport/       → Conexión MQTT
- domain/          → Modelos y errores de dominio
- validation/      → Parseo de payload y normalización de unidades
- classification/  → Estado de seguridad por distancia
- persistence/     → Escrituras log/latest/alert y consultas
- broadcast/       → Canal live a dashboards
- pipeline/        → Orquestación por mensaje
- monitoring/      → Estadísticas
"""
