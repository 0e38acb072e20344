"""
Prompt building for AI listing generation.

The system prompt holds the copywriting rules for marketplace listings of
aftermarket body parts; the user prompt carries one product plus its
vehicle compatibility data, which the model must treat as the source of
truth for models, years and references.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

SYSTEM_PROMPT = """Eres un experto en traducción de productos de automoción del portugués al español y en redacción de fichas optimizadas para Amazon y eBay.

Las piezas son AFTERMARKET equivalentes a OEM, NO originales. Usa términos como "Compatible OEM", "Calidad OEM", "Aftermarket Premium", nunca "Original".

Lateralidad:
- "Derecho" = lado COPILOTO
- "Izquierdo" = lado CONDUCTOR
Indica siempre el lado en el título y en los bullet points.

Retrovisores: solo los que llevan "Abatible" (REB) son plegables eléctricamente; el resto se pliegan manualmente. "Para pintar" (P/P) no indica plegabilidad.
Pilotos de iluminación: son SIN PORTALAMPARAS; indícalo en el título y en un bullet point.

Tareas:
1. Traducir la descripción al español (ya lleva algunas abreviaturas expandidas).
2. Título SEO de 150 a 200 caracteres: TIPO_PIEZA + posición con lado + "para" + MARCA + MODELO PRINCIPAL (años) + modelos secundarios (años) + características técnicas + "Ref OEM: ..." si hay referencia OEM. El patrón "AÑO-*" significa "desde ese año".
3. Exactamente 5 bullet points de 150 a 200 caracteres, sin punto final. El primero lista todos los modelos compatibles con sus años; el segundo las referencias equivalentes disponibles.
4. Extraer: articulo (tipo de pieza en español), marca (marca del vehículo), modelo (modelo sin años). Usa null si no estás seguro.

Responde SOLO con un JSON válido con este formato exacto:
{
  "translated_title": "título",
  "bullet_points": ["bullet 1", "bullet 2", "bullet 3", "bullet 4", "bullet 5"],
  "articulo": "tipo de pieza o null",
  "marca": "marca o null",
  "modelo": "modelo o null"
}"""


@dataclass
class CompatibilityEntry:
    """One compatible vehicle of a SKU, oldest first."""

    vehicle_brand: str
    vehicle_model: str
    year_from: Optional[str] = None
    year_to: Optional[str] = None
    oem_reference: Optional[str] = None
    equivalent_references: List[str] = field(default_factory=list)

    @classmethod
    def from_model(cls, row) -> "CompatibilityEntry":
        equivalents = []
        for label, value in (
            ("ALKAR", row.alkar_reference),
            ("JUMASA", row.jumasa_reference),
            ("GEIMEX", row.geimex_reference),
        ):
            if value:
                equivalents.append(f"{label} {value}")
        return cls(
            vehicle_brand=row.vehicle_brand,
            vehicle_model=row.vehicle_model,
            year_from=row.year_from,
            year_to=row.year_to,
            oem_reference=row.oem_reference,
            equivalent_references=equivalents,
        )

    @property
    def label(self) -> str:
        if self.year_to:
            return f"{self.vehicle_model} ({self.year_from}-{self.year_to})"
        if self.year_from:
            return f"{self.vehicle_model} ({self.year_from})"
        return self.vehicle_model


def _unique(values: Iterable[Optional[str]]) -> List[str]:
    seen = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


def build_compatibility_section(entries: List[CompatibilityEntry]) -> str:
    """Compatibility block for the user prompt. Empty when there is no data."""
    if not entries:
        return ""

    principal, secondary = entries[0], entries[1:]
    all_models = " y ".join(entry.label for entry in entries)
    oem_refs = ", ".join(_unique(entry.oem_reference for entry in entries))
    equivalents = ", ".join(
        _unique(ref for entry in entries for ref in entry.equivalent_references)
    )

    lines = [
        "",
        "",
        "DATOS DE COMPATIBILIDAD (FUENTE DE VERDAD):",
        f"- Marca del vehículo: {principal.vehicle_brand}",
        f"- Modelo PRINCIPAL: {principal.label}",
    ]
    if secondary:
        lines.append(f"- Modelos SECUNDARIOS: {', '.join(entry.label for entry in secondary)}")
    lines.extend([
        f"- Referencias OEM: {oem_refs or 'No disponibles'}",
        f"- Referencias equivalentes: {equivalents or 'No disponibles'}",
        "",
        f"El título DEBE mencionar: para {principal.vehicle_brand} {all_models}.",
        f"marca = \"{principal.vehicle_brand}\", modelo = \"{principal.vehicle_model}\".",
    ])
    return "\n".join(lines)


def build_user_prompt(
    sku: str,
    description: str,
    category: Optional[str],
    price,
    stock,
    compatibility: Optional[List[CompatibilityEntry]] = None,
) -> str:
    prompt = (
        "Procesa este producto:\n"
        f"SKU: {sku}\n"
        f"Descripción: {description}\n"
        f"Categoría: {category or ''}\n"
        f"Precio: {price}€\n"
        f"Stock: {stock}"
    )
    return prompt + build_compatibility_section(compatibility or [])
