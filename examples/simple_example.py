#!/usr/bin/env python3
"""Simple example of using the LaTeX to MathML converter"""

import json

from latex_mathml import LaTeXConverter, ConversionOptions

# Create converter
converter = LaTeXConverter()

# Some formulas to convert
formulas = [
    r"E = mc^2",
    r"x = \frac{-b \pm \sqrt{b^2 - 4ac}}{2a}",
    r"\begin{pmatrix} a & b \\ c & d \end{pmatrix}",
    r"\frac{a}{",
]

# Convert them
print("Converting formulas...")
results = []
for i, latex in enumerate(formulas, 1):
    result = converter.convert(latex, display_mode=True)
    results.append({'latex': latex, **result.to_dict()})

    print(f"\n{i}. {latex}")
    if result.is_successful:
        print(f"   {result.mathml}")
    else:
        print(f"   Failed: {'; '.join(result.errors)}")

# Strict mode rejects unknown commands instead of printing them as text
strict = converter.convert(r"\unknown{x}", ConversionOptions(strict_mode=True))
print(f"\nStrict mode: {strict.errors}")

# Save to file
with open("my_formulas.json", "w", encoding="utf-8") as f:
    json.dump(results, f, indent=2, ensure_ascii=False)
print("\nResults saved to my_formulas.json")
