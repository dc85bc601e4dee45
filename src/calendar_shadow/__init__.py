"""
Calendar Shadow — mirror a main calendar onto a shared shadow calendar.
"""
