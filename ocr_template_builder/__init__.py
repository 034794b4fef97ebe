"""OCR-to-form-template synthesis pipeline"""
