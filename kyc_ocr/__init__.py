"""KYC Document OCR.

Extracts structured identity records (name, date of birth, age,
nationality) and property records (deed number, address, owner, tax ID)
from noisy OCR of passports, driver's licenses, ID cards and deeds,
using OpenCV preprocessing, two-pass Tesseract recognition, MRZ
decoding and layered text heuristics.
"""
