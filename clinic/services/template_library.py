"""
Built-in quick email templates, grouped by category.

Placeholders in square brackets are substituted when a template is
rendered for a patient (see ``clinic.services.communication``).
"""

BUILTIN_TEMPLATES = {
    'Welcome & New Patients': {
        'welcome': {
            'subject': 'Welcome to our dental practice',
            'content': (
                'We would like to thank you for choosing our practice for your dental care. We look forward '
                'to providing you with excellent dental treatment in a comfortable and caring environment.\n\n'
                "Please don't hesitate to contact us if you have any questions about your upcoming appointment "
                'or if you need to make any changes to your schedule.'
            ),
        },
        'new_patient_forms': {
            'subject': 'Please complete your new patient forms',
            'content': (
                'To help us prepare for your first visit and provide you with the best possible care, please '
                'complete the attached new patient forms.\n\n'
                'Please bring a valid ID and your insurance card to your appointment. If you have any questions, '
                'feel free to contact our office.'
            ),
        },
        'first_visit_prep': {
            'subject': 'Preparing for your first visit',
            'content': (
                "We're excited to meet you at your upcoming appointment! Here's what to expect during your "
                'first visit and how to prepare.\n\n'
                'Please arrive 15 minutes early to complete any remaining paperwork. Don\'t forget to bring your '
                'insurance card and a list of current medications.'
            ),
        },
    },
    'Appointments & Scheduling': {
        'appointment_reminder': {
            'subject': 'Time to schedule your next appointment',
            'content': (
                "According to our records, it's time to schedule your next dental appointment. Regular check-ups "
                'are important for maintaining optimal oral health.\n\n'
                'Please contact our office at your earliest convenience to schedule an appointment that works '
                'best for you.'
            ),
        },
        'routine_appointment_reminder': {
            'subject': 'Reminder: Schedule your routine dental appointment',
            'content': (
                'Dear [Patient First Name],\n\n'
                "It's time for your routine dental check-up! Regular dental visits every 6 months help maintain "
                'optimal oral health and prevent potential problems.\n\n'
                'Please contact our office to schedule your appointment:\n'
                '- Phone: [Practice Phone]\n'
                '- Email: [Practice Email]\n'
                '- Online booking: [Website]\n\n'
                'We look forward to seeing you soon!\n\n'
                'Best regards,\n[Practice Name] Team'
            ),
        },
        'pending_appointment_reminder': {
            'subject': 'Reminder: Please schedule your pending appointment',
            'content': (
                'Dear [Patient First Name],\n\n'
                'You have a pending appointment that needs to be scheduled. This appointment is important for '
                'continuing your dental care plan.\n\n'
                'Please contact our office as soon as possible to confirm your appointment time:\n'
                '- Phone: [Practice Phone]\n'
                '- Email: [Practice Email]\n\n'
                'Thank you for your attention to this matter.\n\n'
                'Best regards,\n[Practice Name] Team'
            ),
        },
        'appointment_confirmation': {
            'subject': 'Appointment confirmation',
            'content': (
                'This is to confirm your upcoming dental appointment. We look forward to seeing you and '
                'providing excellent dental care.\n\n'
                'If you need to reschedule or have any questions, please contact our office at least 24 hours '
                'in advance.'
            ),
        },
        'cleaning_reminder': {
            'subject': 'Your cleaning appointment is coming up',
            'content': (
                'This is a friendly reminder that your professional cleaning appointment is scheduled soon. '
                'Regular cleanings are essential for maintaining healthy teeth and gums.\n\n'
                'Please arrive 15 minutes early to complete any necessary paperwork and ensure we can start '
                'your appointment on time.'
            ),
        },
        'missed_appointment': {
            'subject': 'We missed you at your appointment',
            'content': (
                'We noticed you missed your scheduled appointment today. We understand that things come up '
                'unexpectedly.\n\n'
                'Please contact our office to reschedule your appointment. Regular dental care is important for '
                'maintaining your oral health.'
            ),
        },
    },
    'Patient Questionnaires': {
        'dental_hygiene_questionnaire': {
            'subject': 'Dental Hygiene Questionnaire - Please Complete',
            'content': (
                'Dear [Patient First Name],\n\n'
                'To provide you with the best possible dental hygiene care, please complete the attached dental '
                'hygiene questionnaire before your appointment.\n\n'
                'Please complete and return this form at least 24 hours before your appointment.\n\n'
                'Best regards,\n[Practice Name] Hygiene Team'
            ),
        },
        'gfi_questionnaire': {
            'subject': 'GFI Health Questionnaire - Required Completion',
            'content': (
                'Dear [Patient First Name],\n\n'
                'Please complete the attached GFI (General Health Information) questionnaire as part of your '
                'dental care preparation.\n\n'
                'If you have questions about any section, please contact our office.\n\n'
                'Best regards,\n[Practice Name] Team'
            ),
        },
        'nutrition_questionnaire': {
            'subject': 'Nutritional Assessment for Oral Health',
            'content': (
                'Dear [Patient First Name],\n\n'
                'Good nutrition plays a vital role in oral health. Please complete the attached nutrition '
                'questionnaire to help us understand how your diet may be affecting your dental health.\n\n'
                'Please complete and return before your appointment.\n\n'
                'Best regards,\n[Practice Name] Nutrition Team'
            ),
        },
    },
    'Payment & Administrative': {
        'insurance_payment_policy': {
            'subject': 'Important: New Payment Policy for Uninsured Patients',
            'content': (
                'Dear [Patient First Name],\n\n'
                'Patients without dental insurance will be asked to pay for services at the time of treatment. '
                'We accept card and cash payments, and payment plans arranged in advance.\n\n'
                'If you have questions about this policy, please contact our office at [Practice Phone] before '
                'your next appointment.\n\n'
                'Best regards,\n[Practice Name] Team'
            ),
        },
    },
    'No-Show Management': {
        'first_missed_appointment': {
            'subject': 'We missed you today - No charge for first missed appointment',
            'content': (
                'Dear [Patient First Name],\n\n'
                'We noticed you were unable to attend your scheduled appointment today. As a courtesy, there is '
                'no charge for this first missed appointment.\n\n'
                'To continue your treatment plan, please contact our office to reschedule:\n'
                '- Phone: [Practice Phone]\n'
                '- Email: [Practice Email]\n\n'
                'We kindly request at least 24 hours notice for any appointment changes to avoid future charges.\n\n'
                'Best regards,\n[Practice Name] Team'
            ),
        },
        'second_missed_appointment': {
            'subject': 'Second missed appointment - Cancellation fee applied',
            'content': (
                'Dear [Patient First Name],\n\n'
                'We missed you again at your scheduled appointment today. This is your second missed appointment '
                'without proper notice, so a cancellation fee has been applied to your account.\n\n'
                'Please contact our office at [Practice Phone] to reschedule your appointment.\n\n'
                'Best regards,\n[Practice Name] Team'
            ),
        },
    },
    'Treatment & Follow-up': {
        'treatment_followup': {
            'subject': 'How are you feeling after your recent treatment?',
            'content': (
                "We hope you're feeling well after your recent dental treatment. It's important to us that "
                "you're comfortable and healing properly.\n\n"
                "If you're experiencing any unusual pain, swelling, or have any concerns, please don't hesitate "
                'to contact our office immediately.'
            ),
        },
        'post_surgery_care': {
            'subject': 'Post-surgery care instructions',
            'content': (
                'Please follow these important post-surgery care instructions to ensure proper healing and '
                'minimize discomfort.\n\n'
                'If you experience excessive bleeding, severe pain, or signs of infection, please contact our '
                'emergency line immediately.'
            ),
        },
        'treatment_plan_review': {
            'subject': 'Your personalized treatment plan',
            'content': (
                "We've prepared a comprehensive treatment plan tailored to your specific dental needs. Please "
                'review the attached plan and contact us with any questions.\n\n'
                "We're here to help you achieve optimal oral health and are happy to discuss any concerns you "
                'may have.'
            ),
        },
    },
    'Preventive Care': {
        'oral_hygiene_tips': {
            'subject': 'Tips for maintaining excellent oral health',
            'content': (
                'Here are some important tips to help you maintain excellent oral health between visits. '
                'Consistent daily care is key to preventing dental problems.\n\n'
                'Remember to brush twice daily, floss regularly, and maintain a healthy diet. We\'re always here '
                'to answer any questions about your oral care routine.'
            ),
        },
        'seasonal_checkup': {
            'subject': 'Time for your seasonal dental checkup',
            'content': (
                "As the season changes, it's a perfect time to schedule your routine dental checkup. Regular "
                'preventive care helps catch potential issues early.\n\n'
                'Contact our office to schedule your appointment and keep your smile healthy and bright '
                'throughout the year.'
            ),
        },
    },
}
