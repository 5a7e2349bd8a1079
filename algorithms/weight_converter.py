class WeightConverter:
    """Display loads in the user's preferred unit; the engine works in kg."""

    KG_TO_LB = 2.20462
    UNITS = ("kg", "lb")

    @classmethod
    def to_unit(cls, kg: float, unit: str) -> float:
        if unit not in cls.UNITS:
            raise ValueError(f"unknown weight unit: {unit}")
        if unit == "kg":
            return kg
        return round(kg * cls.KG_TO_LB, 1)

    @classmethod
    def from_unit(cls, value: float, unit: str) -> float:
        if unit not in cls.UNITS:
            raise ValueError(f"unknown weight unit: {unit}")
        if unit == "kg":
            return value
        return round(value / cls.KG_TO_LB, 2)

    @classmethod
    def describe(cls, kg: float, unit: str) -> str:
        return f"{cls.to_unit(kg, unit):g} {unit}"
